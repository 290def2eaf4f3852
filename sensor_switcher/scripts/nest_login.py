"""
Save a logged-in Nest browser session for the sensor switcher.

Opens home.nest.com in a visible browser. Log in by hand (including any
two-factor prompt); once the thermostat header appears the session is
written to NEST_STORAGE_STATE (default resource/nest-session.json).

Usage:
    python -m sensor_switcher.scripts.nest_login
    nest-login
"""

import asyncio

from dotenv import load_dotenv

from sensor_switcher.dependencies import build_nest_switcher
from sensor_switcher.utils.logging import setup_logging


async def save_nest_session() -> str:
    """Run the interactive login and return the saved session path."""
    switcher = build_nest_switcher()
    return await switcher.save_session()


def main() -> None:
    load_dotenv()
    setup_logging()

    path = asyncio.run(save_nest_session())
    print(f"Nest session saved to {path}")


if __name__ == "__main__":
    main()
