from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi.middleware.cors import CORSMiddleware

if TYPE_CHECKING:
    from fastapi import FastAPI

    from offday.config import Settings

EDITOR_HEADER = "X-Editor"


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Allow the browser front end to call the API and identify the editor."""
    app.add_middleware(
        CORSMiddleware,  # ty: ignore[invalid-argument-type]
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type", EDITOR_HEADER],
    )
