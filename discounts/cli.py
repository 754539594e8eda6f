"""
Command line.

    discounts serve --port 8080
    discounts evaluate shop-1 cart.json --code SAVE10
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

import uvicorn
from kungfu import Ok, Error
from pydantic import ValidationError

from discounts.api import CartDiscountOut, CartIn, app_from_settings
from discounts.config import Settings
from discounts.engine import DiscountEngine
from discounts.store import SQLAlchemyStore, create_database

logger = logging.getLogger(__name__)


def _settings(args: argparse.Namespace) -> Settings:
    settings = Settings.from_env()
    if args.database is not None:
        settings = settings.with_database(args.database)
    if args.log_level is not None:
        settings = settings.with_log_level(args.log_level)
    return settings


def _configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Commands
# ═══════════════════════════════════════════════════════════════════════════════


def serve(args: argparse.Namespace) -> int:
    settings = _settings(args)
    if args.host is not None or args.port is not None:
        settings = settings.with_server(args.host or settings.host, args.port or settings.port)
    _configure_logging(settings)

    logger.info("Starting server on %s:%d", settings.host, settings.port)
    uvicorn.run(
        app_from_settings(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
    return 0


async def _evaluate(settings: Settings, store_id: str, cart: CartIn, code: str | None) -> int:
    session_factory, db = await create_database(settings.database_url)
    try:
        engine = DiscountEngine(SQLAlchemyStore(session_factory), settings)
        match await engine.apply_to_cart(cart.to_domain(store_id), code):
            case Ok(result):
                print(CartDiscountOut.from_domain(result).model_dump_json(indent=2))
                return 0
            case Error(e):
                logger.error("Pricing failed: %s", e.message)
                return 1
    finally:
        await db.dispose()


def evaluate(args: argparse.Namespace) -> int:
    settings = _settings(args)
    _configure_logging(settings)

    raw = sys.stdin.read() if args.cart == "-" else Path(args.cart).read_text()
    try:
        cart = CartIn.model_validate(json.loads(raw))
    except (json.JSONDecodeError, ValidationError) as e:
        logger.error("Invalid cart: %s", e)
        return 2

    return asyncio.run(_evaluate(settings, args.store_id, cart, args.code))


# ═══════════════════════════════════════════════════════════════════════════════
# Entry point
# ═══════════════════════════════════════════════════════════════════════════════


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="discounts", description="Storefront discount engine.")
    parser.add_argument("--database", help="SQLAlchemy URL (default: DISCOUNTS_DATABASE_URL).")
    parser.add_argument("--log-level", help="Logging level (default: DISCOUNTS_LOG_LEVEL).")
    commands = parser.add_subparsers(dest="command", required=True)

    serve_cmd = commands.add_parser("serve", help="Run the HTTP API.")
    serve_cmd.add_argument("--host")
    serve_cmd.add_argument("--port", type=int)
    serve_cmd.set_defaults(run=serve)

    evaluate_cmd = commands.add_parser("evaluate", help="Price a JSON cart.")
    evaluate_cmd.add_argument("store_id")
    evaluate_cmd.add_argument("cart", help="Path to the cart JSON, or - for stdin.")
    evaluate_cmd.add_argument("--code", help="Coupon code to apply.")
    evaluate_cmd.set_defaults(run=evaluate)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    return args.run(args)


if __name__ == "__main__":
    sys.exit(main())
