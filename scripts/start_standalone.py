import os
import subprocess
import sys
from pathlib import Path

from sqlalchemy.engine import make_url


def _env_default(name: str, value: str) -> None:
    current = os.environ.get(name)
    if current is None or current.strip() == "":
        os.environ[name] = value


def _prepare_environment() -> None:
    _env_default("APP_PORT", "8000")
    _env_default("DATABASE_URL", "sqlite+pysqlite:////data/gcore.db")
    _env_default("CHAIN_BACKEND", "memory")
    _env_default("AUTO_CREATE_ADMIN", "true")
    _env_default("SEED_REWARDS", "true")


def _ensure_storage_paths() -> None:
    try:
        parsed_url = make_url(os.environ["DATABASE_URL"])
    except Exception:
        return

    if not parsed_url.drivername.startswith("sqlite"):
        return

    db_path = parsed_url.database
    if not db_path or db_path == ":memory:":
        return

    Path(db_path).parent.mkdir(parents=True, exist_ok=True)


def _run(cmd: list[str]) -> None:
    print(">", " ".join(cmd), flush=True)
    subprocess.run(cmd, check=True)


def main() -> None:
    _prepare_environment()
    _ensure_storage_paths()

    print("Starting standalone G-CORE rewards backend with:", flush=True)
    print(f"  DATABASE_URL={os.environ['DATABASE_URL']}", flush=True)
    print(f"  CHAIN_BACKEND={os.environ['CHAIN_BACKEND']}", flush=True)
    if os.environ["CHAIN_BACKEND"] == "memory":
        print("  Balances live in process memory and are lost on restart.", flush=True)

    _run([sys.executable, "-m", "alembic", "upgrade", "head"])
    if os.environ["SEED_REWARDS"].strip().lower() in {"1", "true", "yes", "on"}:
        _run([sys.executable, "scripts/seed_rewards.py"])
    if os.environ.get("BOOTSTRAP_ADMIN_WALLET", "").strip():
        _run([sys.executable, "scripts/seed_admin.py", "--wallet", os.environ["BOOTSTRAP_ADMIN_WALLET"]])

    os.execvp(
        "uvicorn",
        [
            "uvicorn",
            "campus_rewards.main:app",
            "--host",
            "0.0.0.0",
            "--port",
            os.environ["APP_PORT"],
        ],
    )


if __name__ == "__main__":
    main()
