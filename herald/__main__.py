import os

from dotenv import load_dotenv

from herald.cli.commands import app

# Load .env file from ~/.herald/ if it exists
# Precedence: existing env vars > .env file (override=False)
load_dotenv(os.path.expanduser("~/.herald/.env"), override=False)

if __name__ == "__main__":
    app()
