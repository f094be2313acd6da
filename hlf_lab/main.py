from __future__ import annotations

import uvicorn

from hlf_lab.core.application import create_application
from hlf_lab.core.config import get_settings


def run() -> None:
    """
    Serve until SIGTERM/SIGINT. uvicorn stops accepting connections, runs the
    lifespan shutdown (pool drain) and exits 0; a second signal forces exit.
    """
    settings = get_settings()
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_config=None)


# Global instance for uvicorn: `uvicorn hlf_lab.main:app`
app = create_application()


if __name__ == "__main__":
    run()
