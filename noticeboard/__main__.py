"""
Noticeboard Entry Point

Usage:
    python -m noticeboard                   # Run API server
    python -m noticeboard init-db           # Create/migrate the database
    python -m noticeboard create-admin      # Create an admin account
    python -m noticeboard config --show     # Show current config
    python -m noticeboard --help            # Show help
"""

import argparse
import getpass
import sys
import logging
from pathlib import Path

from . import __version__
from .errors import NoticeBoardError, ValidationError


def setup_logging(level: str, log_file: str | None = None):
    """Configure logging for the application."""
    log_format = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    handlers = [logging.StreamHandler()]

    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=log_format,
        handlers=handlers
    )


def run_config(args, config_path: Path) -> int:
    """Config subcommand: show, validate or write a default file."""
    from .config import create_default_config, load_config

    if args.init:
        if config_path.exists():
            print(f"{config_path} already exists")
            return 1
        create_default_config(config_path)
        print(f"Wrote default configuration to {config_path}")
        return 0

    config = load_config(config_path)

    if args.show:
        import toml
        shown = config._to_dict()
        shown["auth"]["jwt_secret"] = "********"
        print(toml.dumps(shown))

    errors = config.validate()
    if args.validate or not args.show:
        if errors:
            for error in errors:
                print(f"  - {error}")
            return 1
        print("Configuration OK")
    return 0


def run_create_admin(args, board) -> int:
    """Create an admin account, prompting for the password."""
    password = getpass.getpass("Admin password: ")
    if password != getpass.getpass("Repeat password: "):
        print("Passwords do not match")
        return 1

    try:
        user = board.auth.create_admin(args.username, args.email, password)
    except ValidationError as e:
        for error in e.errors:
            print(f"  - {error.field}: {error.message}")
        return 1
    except NoticeBoardError as e:
        print(e.message)
        return 1

    print(f"Created admin '{user['username']}' (id {user['id']})")
    return 0


def main():
    """Main entry point for Noticeboard."""
    parser = argparse.ArgumentParser(
        prog="noticeboard",
        description="Noticeboard - Broadcast Notice Board Service"
    )
    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"Noticeboard {__version__}"
    )
    parser.add_argument(
        "--config", "-c",
        type=Path,
        default=Path("config.toml"),
        help="Path to configuration file (default: config.toml)"
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: from config, else INFO)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    subparsers.add_parser("serve", help="Run the API server (default)")
    subparsers.add_parser("init-db", help="Create or migrate the database")

    admin_parser = subparsers.add_parser("create-admin", help="Create an admin account")
    admin_parser.add_argument("--username", default=None, help="Admin username")
    admin_parser.add_argument("--email", default=None, help="Admin email")

    config_parser = subparsers.add_parser("config", help="Configuration interface")
    config_parser.add_argument("--show", action="store_true", help="Show current config")
    config_parser.add_argument("--validate", action="store_true", help="Validate config")
    config_parser.add_argument("--init", action="store_true", help="Write a default config file")

    args = parser.parse_args()

    if args.command == "config":
        setup_logging(args.log_level or "WARNING")
        sys.exit(run_config(args, args.config))

    from .config import load_config
    from .core.board import NoticeBoard

    config = load_config(args.config)
    setup_logging(args.log_level or config.logging.level, config.logging.file or None)
    logger = logging.getLogger("noticeboard")

    if args.command in (None, "serve"):
        errors = config.validate()
        if errors:
            for error in errors:
                logger.error(f"Config error: {error}")
            sys.exit(1)

    board = NoticeBoard(config)

    try:
        board.setup()

        if args.command == "init-db":
            logger.info(
                f"Database ready at {config.database.path} "
                f"({board.db.count_broadcasts()} broadcasts)"
            )
        elif args.command == "create-admin":
            args.username = args.username or config.auth.admin_username
            args.email = args.email or config.auth.admin_email
            sys.exit(run_create_admin(args, board))
        else:
            from .web.app import create_app
            app = create_app(board)
            logger.info(f"Starting Noticeboard v{__version__} on {config.server.host}:{config.server.port}")
            app.run(
                host=config.server.host,
                port=config.server.port,
                debug=config.server.debug,
                threaded=True
            )
    except KeyboardInterrupt:
        logger.info("Shutdown requested")
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        sys.exit(1)
    finally:
        board.shutdown()


if __name__ == "__main__":
    main()
