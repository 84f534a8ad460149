# src/blinkpay/__main__.py
"""Module entry point: python -m blinkpay."""

from blinkpay.app import main

if __name__ == "__main__":
    main()
