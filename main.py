import uvicorn

from taskboard.config import Settings


def run() -> None:
    settings = Settings.from_env()
    uvicorn.run(
        "taskboard.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
    )


if __name__ == "__main__":
    run()
