from adexpress.utils.log import setup_logging

logger = setup_logging()


async def database_test_connection() -> bool:
    """
    Test the connection to the database.
    :return: True if the connection is successful, otherwise False.
    """
    from adexpress.database import test_connection

    try:
        await test_connection()
        return True
    except Exception as e:
        logger.error(e)
        return False


async def refresh_ads(service) -> None:
    """
    Reload every ad from the store, the remote copy wins.
    """
    logger.info("Refreshing advertisements...")

    try:
        ads = await service.refresh()
        logger.info(f"Advertisements refreshed ({len(ads)}).")
    except Exception as e:
        logger.error(f"Failed to refresh advertisements: {e}")


async def update_statistics(service, statistics) -> None:
    """
    Update statistics.
    """
    logger.info("Starting statistics update...")

    try:
        await statistics.update_all_statistics(service.ads, service.now())
        logger.info("Statistics updated successfully.")
    except Exception as e:
        logger.error(f"Failed to update statistics: {e}")
