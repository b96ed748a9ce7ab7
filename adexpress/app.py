import asyncio

from adexpress.services.advertisement import AdvertisementService
from adexpress.services.statistic import StatisticService
from adexpress.services.storage import ChangeFeed, DatabaseAdStore, RedisAdMirror, TwoTierAdStore
from adexpress.services.user import UserService
from adexpress.utils.log import setup_logging
from adexpress.utils.redis import close_redis
from adexpress.utils.scheduler import start_scheduler
from adexpress.utils.tasks import database_test_connection, update_statistics

logger = setup_logging()


class Application:
    """
    Bootstrap the application.
    """

    def __init__(self) -> None:
        """
        Constructor.
        """
        self.__users = UserService()
        self.__database = DatabaseAdStore()
        self.__feed = ChangeFeed()
        self.__store = TwoTierAdStore(self.__database, RedisAdMirror(), self.__feed)
        self.__advertisements = AdvertisementService(self.__store, self.__users)
        self.__statistics = StatisticService()

    @property
    def users(self) -> UserService:
        return self.__users

    @property
    def advertisements(self) -> AdvertisementService:
        return self.__advertisements

    @property
    def statistics(self) -> StatisticService:
        return self.__statistics

    async def start(self) -> None:
        """
        Start the application.
        """
        if not await database_test_connection():
            logger.error("Database connection failed.")
            return

        await self.__database.migrate()
        await self.__advertisements.refresh()
        await update_statistics(self.__advertisements, self.__statistics)

        scheduler = start_scheduler(self.__advertisements, self.__statistics)
        listener = asyncio.create_task(self.__feed.listen())

        try:
            await listener
        except (KeyboardInterrupt, SystemExit, asyncio.CancelledError):
            logger.info("Shutting down...")
        finally:
            scheduler.shutdown()
            listener.cancel()
            await close_redis()
