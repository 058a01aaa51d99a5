#!/usr/bin/env python3
# backend/run.py
"""
Local development server with auto-reload.

Tables are created on startup by the app itself in development, so a
fresh SQLite file is usable immediately.
"""
import os
from pathlib import Path
import sys

BACKEND_DIR = Path(__file__).resolve().parent
sys.path.insert(0, str(BACKEND_DIR))
os.chdir(BACKEND_DIR)
os.environ.setdefault("ENVIRONMENT", "development")

import uvicorn  # noqa: E402

if __name__ == "__main__":
    host = os.environ.get("HOST", "127.0.0.1")
    port = int(os.environ.get("PORT", "8000"))
    print(f"Room Rental API on http://{host}:{port} (docs at /docs)")
    uvicorn.run("app.main:app", host=host, port=port, reload=True, log_level="info")
