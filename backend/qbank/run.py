"""Start the API server."""
import uvicorn

from qbank.core import config


def main() -> None:
    uvicorn.run(
        "qbank.main:app",
        host=config.HOST,
        port=config.PORT,
        log_level=config.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
