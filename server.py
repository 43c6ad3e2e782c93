#!/usr/bin/env python3
"""
Local entrypoint: `python3 server.py` serves the API on POC_HOST:POC_PORT.
"""

from proof_of_capital.main import run


if __name__ == "__main__":
    run()
