"""RPi temperature monitor entrypoint.

Usage: python -m rpimon {check,serve} ...
"""

from rpimon.cli import run

if __name__ == "__main__":
    run()
