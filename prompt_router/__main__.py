"""Command-line demo: ``python -m prompt_router "Create a todo app in React"``."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys

from loguru import logger

from prompt_router.config import RouterSettings
from prompt_router.errors import RouterError
from prompt_router.router import PromptRouter


def _echo(chunk: str) -> None:
    sys.stdout.write(chunk)
    sys.stdout.flush()


async def _run(prompt: str, stream: bool) -> int:
    router = PromptRouter.from_settings(RouterSettings.from_env())
    result = await router.route(prompt, on_token=_echo if stream else None)
    if stream:
        sys.stdout.write("\n")
    print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
    return 1 if result.kind == "error" else 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="prompt_router", description=__doc__)
    parser.add_argument("prompt", help="prompt text to route")
    parser.add_argument("--stream", action="store_true", help="print tokens as they arrive")
    parser.add_argument("-v", "--verbose", action="store_true", help="show routing logs")
    args = parser.parse_args(argv)

    if not args.verbose:
        logger.remove()
        logger.add(sys.stderr, level="WARNING")

    try:
        return asyncio.run(_run(args.prompt, args.stream))
    except (RouterError, ValueError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
