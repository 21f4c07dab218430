"""
Server entrypoint.
Runs the FastAPI app under uvicorn with host/port from settings.
"""

import uvicorn

from exam_relay.config import settings


def main() -> None:
    uvicorn.run(
        "exam_relay.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
