# arklet/main.py
"""
Run an Arklet instance configured from the environment (.env supported):

    python -m arklet.main
"""
import logging

from arklet import create_arklet


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    create_arklet().start()


if __name__ == "__main__":
    main()
