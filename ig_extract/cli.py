from __future__ import annotations

import argparse
import json
import sys
from contextlib import ExitStack
from pathlib import Path
from typing import Any, Sequence

from .assemble import ExtractionSettings, require_post
from .config import config_sha256, load_config
from .errors import (
    ConfigError,
    ExtractError,
    MalformedReferenceError,
    NotRecognizedError,
    ParseFailureError,
)
from .run_log import ExtractLogger
from .shortcode import decode_shortcode, encode_media_id
from .urls import extract_post_urls, parse_post_url


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ig_extract")

    subparsers = parser.add_subparsers(dest="command", required=True)

    extract = subparsers.add_parser(
        "extract",
        help="Extract a post record from a saved HTML page or JSON payload.",
    )
    extract.add_argument(
        "--input",
        required=True,
        help="Path to the HTML/JSON payload ('-' reads stdin).",
    )
    extract.add_argument(
        "--url",
        default=None,
        help="Post URL the payload was fetched from (supplies the shortcode).",
    )
    extract.add_argument(
        "--extra",
        action="append",
        default=[],
        help="Extra JSON payload for the same post; may be repeated.",
    )
    extract.add_argument(
        "--config",
        default=None,
        help="Path to YAML config file.",
    )
    extract.add_argument(
        "--log",
        default=None,
        help="JSONL log path (overrides logging.path from the config).",
    )
    extract.set_defaults(_handler=_cmd_extract)

    urls = subparsers.add_parser(
        "urls",
        help="List canonical post URLs found in free text.",
    )
    urls.add_argument(
        "--input",
        default="-",
        help="Path to a text file ('-' reads stdin, the default).",
    )
    urls.set_defaults(_handler=_cmd_urls)

    url = subparsers.add_parser(
        "url",
        help="Canonicalize one post URL and show its shortcode and media id.",
    )
    url.add_argument("value", help="Post, reel or TV URL.")
    url.set_defaults(_handler=_cmd_url)

    decode = subparsers.add_parser("decode", help="Shortcode to numeric media id.")
    decode.add_argument("shortcode")
    decode.set_defaults(_handler=_cmd_decode)

    encode = subparsers.add_parser("encode", help="Numeric media id to shortcode.")
    encode.add_argument("media_id")
    encode.set_defaults(_handler=_cmd_encode)

    return parser


def _eprint(message: str) -> None:
    print(message, file=sys.stderr)


def _read_text(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    p = Path(path)
    try:
        return p.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        raise ParseFailureError(f"Failed to read input file: {p}") from e


def _read_json(path: str) -> Any:
    text = _read_text(path)
    try:
        return json.loads(text)
    except (ValueError, RecursionError) as e:
        raise ParseFailureError(f"Invalid JSON in {path}: {e}") from e


def _cmd_extract(args: argparse.Namespace) -> int:
    cfg = load_config(args.config)
    settings = ExtractionSettings.from_config(cfg)

    log_path = args.log or cfg.logging.path
    with ExitStack() as stack:
        log: ExtractLogger | None = None
        if log_path:
            log = stack.enter_context(
                ExtractLogger.open(log_path, overwrite=True, level=cfg.logging.level)
            )
            log.set_url(args.url)
            log.info(
                "extract_command_started",
                input=str(args.input),
                config_sha256=config_sha256(cfg),
            )

        try:
            payload = _read_text(args.input)
            extra = [_read_json(p) for p in args.extra]
            post = require_post(
                payload,
                url=args.url,
                extra_payloads=extra,
                settings=settings,
                logger=log,
            )
        except Exception as e:
            if log is not None:
                log.exception("extract_command_failed", exc=e)
            raise

        if log is not None:
            log.info(
                "extract_command_completed",
                shortcode=post.short_code,
                typename=post.typename,
                media_count=len(post.media),
            )

    print(json.dumps(post.to_dict(), indent=2, ensure_ascii=False, sort_keys=True))
    return 0


def _cmd_urls(args: argparse.Namespace) -> int:
    found = extract_post_urls(_read_text(args.input))
    if not found:
        raise NotRecognizedError("No Instagram post URLs found")
    for url in found:
        print(url)
    return 0


def _cmd_url(args: argparse.Namespace) -> int:
    parsed = parse_post_url(args.value)
    if parsed is None:
        raise NotRecognizedError(f"Not an Instagram post URL: {args.value}")

    print(f"url={parsed.url}")
    print(f"shortcode={parsed.short_code}")
    print(f"media_id={decode_shortcode(parsed.short_code) or ''}")
    return 0


def _cmd_decode(args: argparse.Namespace) -> int:
    media_id = decode_shortcode(args.shortcode)
    if media_id is None:
        raise MalformedReferenceError(f"Invalid shortcode: {args.shortcode}")
    print(media_id)
    return 0


def _cmd_encode(args: argparse.Namespace) -> int:
    short_code = encode_media_id(args.media_id)
    if short_code is None:
        raise MalformedReferenceError(f"Invalid media id: {args.media_id}")
    print(short_code)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        handler = getattr(args, "_handler")
        return int(handler(args))
    except ConfigError as e:
        _eprint(str(e))
        return 2
    except ExtractError as e:
        _eprint(str(e))
        return 3
    except KeyboardInterrupt:
        _eprint("Interrupted")
        return 130
    except Exception as e:
        _eprint(f"Unexpected error: {e}")
        return 1
