from adexpress.database.main import Base, DatabaseEngine, get_session, test_connection
