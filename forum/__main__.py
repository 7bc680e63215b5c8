"""Entry point: ``python -m forum``."""

import asyncio

from forum.app import main

if __name__ == "__main__":
    asyncio.run(main())
