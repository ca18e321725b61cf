"""
GrowFlow — Entry Point.

`python main.py` starts the HTTP API.
`python main.py bot` starts the Telegram note bot.
"""

import logging
import sys

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

from src.config import load_settings


def main() -> None:
    settings = load_settings()

    if len(sys.argv) > 1 and sys.argv[1] == "bot":
        from src.bot.telegram_bot import main as run_bot

        run_bot(settings)
        return

    import uvicorn

    from src.api.app import create_app

    uvicorn.run(create_app(settings), host=settings.API_HOST, port=settings.API_PORT)


if __name__ == "__main__":
    main()
