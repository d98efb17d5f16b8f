# planner/main.py
import logging
import os, sys
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from api.app import create_app, run_app
from storage.db import init_db


def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    init_db()
    run_app(create_app())


if __name__ == "__main__":
    main()
