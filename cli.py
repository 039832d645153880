"""
cli.py -- Command-line test client for the SMS farm advisory service.

Simulates the SMS loop locally without Twilio/Flask. Type a message exactly
as a farmer would text it (e.g. "WEATHER -17.83,31.05") and see the reply
and its length.

Usage:  python cli.py
        python cli.py WEATHER -17.83,31.05     (one message, then exit)
"""

import logging
import os
import sys

from dotenv import load_dotenv

from config import load_settings
from pipeline import handle_sms


def _show(text, settings):
    parsed, sms_text = handle_sms(text, settings)
    print(f"\n[{parsed.kind.value}] ({len(sms_text)}/{settings.max_reply_length} chars)")
    if parsed.error:
        print(f"parse error ({parsed.error_kind.value}): {parsed.error}")
    print(f"{sms_text}\n")


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    load_dotenv()
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "WARNING").upper(),
        format="[%(name)s] %(message)s",
    )
    settings = load_settings()

    if argv:
        _show(" ".join(argv), settings)
        return

    print("=== Farm SMS Advisory (CLI) ===")
    print("Type an SMS, e.g. WEATHER -17.83,31.05 or HELP.")
    print("Type 'quit' or 'exit' to leave.\n")

    while True:
        try:
            text = input("> ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\nBye!")
            break

        if text.lower() in ("quit", "exit"):
            print("Bye!")
            break

        _show(text, settings)


if __name__ == "__main__":
    main()
