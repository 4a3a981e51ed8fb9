# src/tokenomy/api/__main__.py
from __future__ import annotations

import uvicorn

from tokenomy.env import load_dotenv_if_present


def main() -> None:
    # Load .env early so TOKENOMY_* vars exist before anything reads them.
    load_dotenv_if_present()

    # Import after dotenv load (prevents "config read before env" surprises)
    from tokenomy.api.app import create_app
    from tokenomy.runtime.chain_config import load_chain_config
    from tokenomy.runtime.executor_boot import build_executor
    from tokenomy.runtime.runtime_logging import configure_structured_logging

    cfg = load_chain_config()
    configure_structured_logging()

    app = create_app(executor=build_executor(cfg))
    uvicorn.run(app, host=cfg.api_host, port=cfg.api_port, log_level=cfg.log_level.lower())


if __name__ == "__main__":
    main()
