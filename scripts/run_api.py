import subprocess
import sys
import os
from pathlib import Path


def main():
    project_root = Path(__file__).parent.parent
    os.chdir(project_root)

    # Ensure src is in python path
    env = os.environ.copy()
    src_path = str(project_root / "src")
    env["PYTHONPATH"] = os.pathsep.join(p for p in (src_path, env.get("PYTHONPATH")) if p)

    host = env.get("PRICELIST_API_HOST", "127.0.0.1")
    port = env.get("PRICELIST_API_PORT", "8000")
    log_level = env.get("PRICELIST_LOG_LEVEL", "info").lower()

    print(f"Starting Price List Engine API on {host}:{port} (data: {env.get('PRICELIST_DATA_DIR', 'data/')})")
    try:
        subprocess.run([
            sys.executable, "-m", "uvicorn",
            "pricelist_engine.api.main:app",
            "--host", host,
            "--port", port,
            "--log-level", log_level,
        ] + sys.argv[1:], env=env)
    except KeyboardInterrupt:
        print("\nAPI stopped.")


if __name__ == "__main__":
    main()
