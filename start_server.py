#!/usr/bin/env python3
"""Launch the stop planner API under uvicorn, honouring the PORT environment variable."""

import os
import sys
import subprocess


def resolve_port(raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        print(f"Warning: Invalid PORT value '{raw}', using default 8000", file=sys.stderr)
        return 8000


def main() -> int:
    port = resolve_port(os.environ.get("PORT", "8000"))

    src_path = os.path.abspath("src")
    if not os.path.isdir(src_path):
        print(f"Warning: src directory not found at {src_path}", file=sys.stderr)
        src_path = os.getcwd()
    existing = os.environ.get("PYTHONPATH", "")
    os.environ["PYTHONPATH"] = f"{src_path}:{existing}" if existing else src_path
    sys.path.insert(0, src_path)

    # Fail early with a readable traceback instead of a uvicorn import loop.
    try:
        import stopplan.main  # noqa: F401
    except Exception as e:
        print(f"❌ Failed to import stopplan.main ({type(e).__name__}): {e}", file=sys.stderr)
        import traceback
        traceback.print_exc(file=sys.stderr)
        return 1

    cmd = [
        sys.executable,
        "-m",
        "uvicorn",
        "stopplan.main:app",
        "--host",
        "0.0.0.0",
        "--port",
        str(port),
        "--proxy-headers",
        "--forwarded-allow-ips",
        "*",
    ]
    print(f"🚀 Starting stop planner on port {port} (PYTHONPATH={os.environ['PYTHONPATH']})", file=sys.stderr)
    try:
        return subprocess.call(cmd)
    except KeyboardInterrupt:
        print("⚠️ Server interrupted by user", file=sys.stderr)
        return 0


if __name__ == "__main__":
    sys.exit(main())
