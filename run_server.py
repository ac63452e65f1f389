#!/usr/bin/env python3
"""
Development server launcher for the Salt Creative API.

This script starts the FastAPI server with appropriate settings for development.
For production, run uvicorn against ``saltcore.api.main:app`` directly.
"""

import os
import uvicorn
from pathlib import Path

project_root = Path(__file__).parent
package_path = project_root / "saltcore"

if __name__ == "__main__":
    os.environ.setdefault("SALT_ENV", "development")
    print("Starting Salt Creative API Development Server")
    print("Server will be available at: http://localhost:8000")
    print("API documentation at: http://localhost:8000/docs")

    uvicorn.run(
        "saltcore.api.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=True,     # Auto-reload on code changes (development only)
        reload_dirs=[str(package_path), str(project_root / "prompts")],
        log_level="info"
    )
