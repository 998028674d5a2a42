from dotenv import load_dotenv

# Config reads the environment at import time.
load_dotenv()

from talkgame.server import create_app  # noqa: E402

app, socketio = create_app()
