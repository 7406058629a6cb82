# geodistance/errors.py


class GeoDistanceError(Exception):
    """Base class; `kind` is what ends up in Evaluation.error."""
    kind = "error"


class ConfigError(GeoDistanceError):
    """Fatal: raised while loading settings or the query template."""
    kind = "config"


class QueryExecutionError(GeoDistanceError):
    """Search failed: shard failures, HTTP errors, timeouts, bad responses."""
    kind = "query"


class ExtractionError(GeoDistanceError):
    """A field is missing or its value is not a usable geo point / timestamp."""
    kind = "extraction"


class ComputationError(GeoDistanceError):
    """Distance or elapsed time came out non-finite."""
    kind = "computation"
