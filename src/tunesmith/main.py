"""
Tunesmith Main Application

Entry point that loads the environment and serves the FastAPI backend
with uvicorn.
"""

import os

import uvicorn
from dotenv import load_dotenv

from .api.backend import create_app
from .models.config_models import SystemConfig


def main() -> None:
    """Run the Tunesmith API server."""
    load_dotenv()

    config = SystemConfig.from_env()
    app = create_app(config)

    uvicorn.run(
        app,
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        log_level=config.log_level.lower()
    )


if __name__ == "__main__":
    main()
