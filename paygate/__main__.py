import uvicorn

from paygate.config import get_settings


def run() -> None:
    """Serve the API with the host and port from settings."""
    settings = get_settings()
    uvicorn.run("paygate.main:app", host=settings.host, port=settings.port, log_level="info")


if __name__ == "__main__":
    run()
