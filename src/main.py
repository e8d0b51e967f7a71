from __future__ import annotations

import logging

from repairshop.cli import run_cli
from repairshop.config import ConfigError, load_config
from repairshop.db import Db, DbError
from repairshop.domain import USER_ROLES
from repairshop.errors import ValidationError
from repairshop.services.user_service import acting_user


def main() -> int:
    try:
        cfg = load_config("config.toml")
        logging.basicConfig(
            level=cfg.log_level,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
        # identity comes from the shop's login service; this console only asks who is acting
        actor = acting_user(input("user id: "), input(f"role ({'/'.join(USER_ROLES)}): "))
        run_cli(Db(cfg.db), cfg, actor)
        return 0
    except ValidationError as e:
        for field, msg in e.errors.items():
            print(f"[INPUT ERROR] {field}: {msg}")
        return 1
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
