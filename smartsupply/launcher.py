# smartsupply/launcher.py
"""Run the customer cache API with uvicorn."""
import os

from dotenv import load_dotenv


def start_api_server():
    from uvicorn import Config, Server

    from .main import app as fastapi_app

    # Reload .env in case the port changed
    load_dotenv(override=True)

    host = os.getenv("UVICORN_HOST", "127.0.0.1")
    port = int(os.getenv("UVICORN_PORT", 7777))

    config = Config(app=fastapi_app, host=host, port=port, log_level="info")
    try:
        Server(config).run()
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    start_api_server()
