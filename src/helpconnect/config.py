"""
config.py
----------
Runtime configuration for the HelpConnect write and read services.
Values come from the environment (or a local .env file during development).
"""

import os
import urllib.parse

from dotenv import load_dotenv

load_dotenv()

# Database
# Code will use DATABASE_URL when set, otherwise build a PostgreSQL URL from the PG_* variables
PG_HOST = os.getenv('PG_HOST', 'localhost')
PG_PORT = os.getenv('PG_PORT', '5432')
PG_DB = os.getenv('PG_DB', 'helpconnect')
PG_USER = os.getenv('PG_USER', 'postgres')
PG_PASSWORD = os.getenv('PG_PASSWORD', 'postgres')

DATABASE_URL = os.getenv("DATABASE_URL") or (
    f"postgresql+psycopg2://{PG_USER}:{urllib.parse.quote_plus(PG_PASSWORD)}"
    f"@{PG_HOST}:{PG_PORT}/{PG_DB}"
)

# Kafka (the live channel for help request changes)
# localhost:9092 if ran locally, kafka:29092 for running on Docker
KAFKA_BOOTSTRAP = os.getenv("KAFKA_BOOTSTRAP", "localhost:9092").split(",")
HELP_REQUESTS_TOPIC = os.getenv("HELP_REQUESTS_TOPIC", "help_requests.changes")

# Geocoding
GEOCODER_URL = os.getenv("GEOCODER_URL", "https://nominatim.openstreetmap.org/search")
GEOCODER_USER_AGENT = os.getenv("GEOCODER_USER_AGENT", "HelpConnect Application")
GEOCODER_TIMEOUT = float(os.getenv("GEOCODER_TIMEOUT", "10"))

# Feed
FEED_SNAPSHOT_LIMIT = int(os.getenv("FEED_SNAPSHOT_LIMIT", "20"))
FEED_MAX_LIMIT = int(os.getenv("FEED_MAX_LIMIT", "100"))

# When true, a malformed insert event puts the whole feed into its error state.
# When false, malformed inserts are logged and dropped like updates.
FEED_STRICT_INSERTS = os.getenv("FEED_STRICT_INSERTS", "true").lower() == "true"

# Start a Kafka listener thread inside the read service
FEED_LIVE_UPDATES = os.getenv("FEED_LIVE_UPDATES", "false").lower() == "true"
