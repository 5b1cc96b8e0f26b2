"""Entry point for running the bot as module: python -m swaprefund"""

import os
import sys

# Load the dotenv file before settings are read
from dotenv import load_dotenv
load_dotenv(os.environ.get("ENV_FILE"))

from swaprefund.main import main

if __name__ == "__main__":
    sys.exit(main())
