import uvicorn

from iptv_gateway.config import settings


def main() -> None:
    """Run the gateway with uvicorn"""
    uvicorn.run(
        "iptv_gateway.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
