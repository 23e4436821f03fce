"""Run the API server: python -m sitelog"""

import uvicorn

from sitelog.config import settings


def main() -> None:
    uvicorn.run(
        "sitelog.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
