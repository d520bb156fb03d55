from __future__ import annotations

import uvicorn

from forensic_link.settings import configure_logging, settings

from .app import build_provider, create_app


def main(snapshot_path: str | None = None, host: str | None = None, port: int | None = None) -> None:
    configure_logging()
    app = create_app(build_provider(snapshot_path))

    config = uvicorn.Config(
        app,
        host=host or settings.bind_host,
        port=port or settings.bind_port,
        log_level=(settings.log_level or "info").lower(),
    )
    uvicorn.Server(config).run()


if __name__ == "__main__":
    main()
