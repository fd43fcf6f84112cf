"""Run the API with uvicorn: python -m radiocalico"""
import uvicorn

from radiocalico.config import settings


def main() -> None:
    uvicorn.run(
        "radiocalico.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
