from __future__ import annotations

import sys

import structlog

from .checkout import CheckoutOrchestrator, CheckoutSettings
from .cli import run_cli
from .config import AppConfig, ConfigError, load_config
from .db import Db, DbError
from .gateway import PosGateway
from .http_gateway import HttpGateway
from .logging_config import configure_logging
from .pg_gateway import PgGateway
from .web_app import create_app

USAGE = "usage: vendorpos [cli|web|init-db] [config.toml]"


def build_gateway(cfg: AppConfig, db: Db | None) -> PosGateway:
    if cfg.api is not None:
        return HttpGateway(cfg.api)
    return PgGateway(db)


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    command = args[0] if args else "cli"
    config_path = args[1] if len(args) > 1 else "config.toml"
    if command not in ("cli", "web", "init-db"):
        print(USAGE)
        return 2

    try:
        cfg = load_config(config_path)
        configure_logging(cfg.log_level, cfg.log_format)
        log = structlog.get_logger().bind(app=cfg.name, command=command)

        db = Db(cfg.db) if cfg.db is not None else None
        gateway = build_gateway(cfg, db)
        log.info("startup", gateway=type(gateway).__name__)

        if command == "init-db":
            if db is None:
                raise ConfigError("init-db needs a [db] section.")
            db.init_schema()
            log.info("schema_initialized")
        elif command == "web":
            create_app(gateway, cfg, db).run()
        else:
            if db is None:
                raise ConfigError("The interactive POS needs a [db] section for the catalog.")
            orchestrator = CheckoutOrchestrator(
                gateway,
                CheckoutSettings(
                    walk_in_label=cfg.business.walk_in_label,
                    default_service_duration_minutes=cfg.business.default_service_duration_minutes,
                ),
            )
            run_cli(db, gateway, cfg, orchestrator)
        return 0
    except ConfigError as e:
        print(f"[CONFIG ERROR] {e}")
        return 2
    except DbError as e:
        print(f"[DB ERROR] {e}")
        return 3
    except KeyboardInterrupt:
        print("\nInterrupted.")
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
