"""Portal entrypoint.

Run with:
  python -m portal
"""

import uvicorn

from portal.config import Settings


def main() -> None:
    settings = Settings.from_env()
    uvicorn.run(
        "portal.app:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
    )

if __name__ == "__main__":
    main()
