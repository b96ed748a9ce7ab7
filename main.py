from dotenv import load_dotenv

load_dotenv()

if __name__ == "__main__":
    import logging
    import sys
    import asyncio

    logging.basicConfig(level=logging.INFO, stream=sys.stdout)

    from adexpress.app import Application

    app = Application()
    asyncio.run(app.start())
