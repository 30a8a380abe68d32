"""
Process entry point.

Loads a local ``.env`` file before the settings are read, then exposes the
FastAPI ``app`` for uvicorn.
"""
import os

from dotenv import load_dotenv

load_dotenv()

from salesdesk.api.main import create_app  # noqa: E402

app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app:app", host=os.getenv("HOST", "0.0.0.0"), port=int(os.getenv("PORT", "8000")))
