"""CLI entry point for the IdeaFlow API server."""

import argparse
import os


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="ideaflow-server",
        description="IdeaFlow API server: idea review workflow engine",
    )
    parser.add_argument("--host", default=None, help="Bind host (default: IDEAFLOW_HOST or 0.0.0.0)")
    parser.add_argument("--port", type=int, default=None, help="Bind port (default: IDEAFLOW_PORT or 8080)")
    parser.add_argument(
        "--local",
        action="store_true",
        help="Local dev mode: SQLite database, in-memory rate limits, no Redis required",
    )
    parser.add_argument(
        "--enable-all-features",
        action="store_true",
        help="Turn on multi-stage review, drafts and blind review",
    )
    args = parser.parse_args(argv)

    if args.local:
        os.environ["IDEAFLOW_LOCAL_MODE"] = "1"
    if args.enable_all_features:
        for flag in ("MULTI_STAGE_REVIEW", "DRAFT", "BLIND_REVIEW", "SCORING"):
            os.environ[f"IDEAFLOW_FEATURE_{flag}_ENABLED"] = "1"

    # Settings are read at import time, so import only after the env is final.
    import uvicorn

    from ideaflow.config import settings

    uvicorn.run(
        "ideaflow.main:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
