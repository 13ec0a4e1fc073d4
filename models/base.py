from sqlalchemy import JSON, BigInteger, Integer
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base
import enum

Base = declarative_base()

# JSONB on PostgreSQL, plain JSON elsewhere
JSONType = JSON().with_variant(JSONB(), "postgresql")

# SQLite only autoincrements INTEGER primary keys
BigIntegerPK = BigInteger().with_variant(Integer, "sqlite")


# ============================================================================
# ENUMS
# ============================================================================

class ContentType(str, enum.Enum):
    """Content domains harvested from TMDb (values are TMDb path segments)"""
    MOVIE = "movie"
    SERIES = "tv"


class DataType(str, enum.Enum):
    """Output record types"""
    CONTENT = "content"
    CREDITS = "credits"
    REVIEWS = "reviews"
    KEYWORDS = "keywords"
    IMAGES = "images"
    COLLECTION = "collection"
    PERSON = "person"


class RecordSource(str, enum.Enum):
    """Acquisition strategy that produced a record"""
    API = "tmdb_api"
    WEB = "tmdb_web"


class RunMode(str, enum.Enum):
    """Active acquisition strategy for a run"""
    API = "api"
    WEB = "web"


class RunStatus(str, enum.Enum):
    """Harvest run status"""
    RUNNING = "running"
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"
    INTERRUPTED = "interrupted"
