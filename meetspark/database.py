"""
Database configuration and initialization
"""

import os
import sys
import logging
from peewee import SqliteDatabase
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Load environment variables from current directory only
# This prevents loading .env files from parent directories
dotenv_path = os.path.join(os.getcwd(), '.env')
load_dotenv(dotenv_path=dotenv_path)

# Initialized by init_database() so the path can come from the app config
database = SqliteDatabase(None, pragmas={'foreign_keys': 1})


def get_models():
    """All models, in table creation order"""
    from meetspark.models.event import Event
    from meetspark.models.registration import Registration
    from meetspark.models.event_question import EventQuestion
    from meetspark.models.question_response import QuestionResponse
    from meetspark.models.meeting_request import MeetingRequest
    from meetspark.models.meeting_message import MeetingMessage

    return [Event, Registration, EventQuestion, QuestionResponse, MeetingRequest, MeetingMessage]


def init_database(database_path=None):
    """Initialize database and create all tables"""
    database_path = database_path or os.getenv('DATABASE_PATH')
    if not database_path:
        logger.error("DATABASE_PATH environment variable is not set! "
                     "Set it in your .env file, e.g. DATABASE_PATH=meetspark.db")
        sys.exit(1)

    if database_path != ':memory:':
        abs_db_path = os.path.abspath(database_path)
        db_dir = os.path.dirname(abs_db_path) or os.getcwd()

        if not os.path.exists(db_dir):
            logger.error(f"Database directory does not exist: {db_dir}")
            sys.exit(1)

        if not os.access(db_dir, os.W_OK):
            logger.error(f"Database directory is not writable: {db_dir}")
            sys.exit(1)

        if os.path.exists(abs_db_path):
            if not os.access(abs_db_path, os.W_OK):
                logger.error(f"Database file is not writable: {abs_db_path}")
                sys.exit(1)
            logger.info(f"Opening database {abs_db_path} ({os.path.getsize(abs_db_path)} bytes)")
        else:
            logger.info(f"Database file will be created: {abs_db_path}")

    database.init(database_path)
    database.connect(reuse_if_open=True)
    database.create_tables(get_models(), safe=True)
    logger.info(f"Database initialized successfully: {database_path}")
    return database


def get_database():
    """Get database instance"""
    return database
