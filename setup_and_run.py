#!/usr/bin/env python3
"""
VidShare API Setup and Run Script

This script prepares a development environment (SQLite database, local asset
store, staging and media directories) and starts the VidShare API server.
"""

import os
import subprocess
import sys
from pathlib import Path

PORT = int(os.getenv("PORT", "8000"))


def setup_environment():
    """Set up environment variables and local directories"""
    print("Setting up VidShare API environment...")

    os.environ.setdefault("ENVIRONMENT", "development")

    # Use SQLite for development to avoid PostgreSQL dependency
    db_url = os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./vidshare.db")
    print(f"Database URL: {db_url}")

    asset_store = os.environ.setdefault("ASSET_STORE", "local")
    print(f"Asset store: {asset_store}")
    if asset_store == "cloudinary":
        missing = [
            name
            for name in ("CLOUDINARY_CLOUD_NAME", "CLOUDINARY_API_KEY", "CLOUDINARY_API_SECRET")
            if not os.getenv(name)
        ]
        if missing:
            print(f"Missing Cloudinary settings: {', '.join(missing)}")
            return False

    if not os.getenv("JWT_SECRET_KEY"):
        print("Warning: JWT_SECRET_KEY not set, tokens will not survive a restart")

    for directory in (
        os.getenv("UPLOAD_TMP_DIR", "./public/temp"),
        os.getenv("MEDIA_ROOT", "./media"),
    ):
        Path(directory).mkdir(parents=True, exist_ok=True)

    os.environ.setdefault("PYTHONPATH", str(Path.cwd()))
    return True


def check_dependencies():
    """Check if required dependencies are installed"""
    print("Checking dependencies...")

    try:
        import fastapi  # noqa: F401
        import sqlmodel  # noqa: F401
        import uvicorn  # noqa: F401

        print("Core dependencies found")
        return True
    except ImportError as e:
        print(f"Missing dependency: {e}")
        print("Installing dependencies...")

        try:
            subprocess.check_call([sys.executable, "-m", "pip", "install", "-e", "."])
            print("Dependencies installed successfully")
            return True
        except subprocess.CalledProcessError:
            print("Failed to install dependencies")
            return False


def start_server():
    """Start the VidShare API server"""
    print("Starting VidShare API server...")
    print(f"Server will be available at: http://localhost:{PORT}")
    print(f"Health check endpoint: http://localhost:{PORT}/healthcheck")
    print("Press Ctrl+C to stop the server")
    print("-" * 50)

    try:
        import uvicorn

        uvicorn.run(
            "main:app",
            host="0.0.0.0",
            port=PORT,
            reload=True,
            log_level="info",
            access_log=True,
        )
    except KeyboardInterrupt:
        print("\nServer stopped by user")


def main():
    """Main setup and run function"""
    print("VidShare API - Setup and Run")
    print("=" * 40)

    script_dir = Path(__file__).parent
    os.chdir(script_dir)
    print(f"Working directory: {script_dir}")

    if not setup_environment():
        print("Failed to setup environment")
        sys.exit(1)

    if not check_dependencies():
        print("Failed to check/install dependencies")
        sys.exit(1)

    start_server()


if __name__ == "__main__":
    main()
