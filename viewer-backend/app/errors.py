class LocationPipelineError(Exception):
    """Base exception for the location/CRS resolution pipeline"""
    pass


class SourceAbsent(LocationPipelineError):
    """Raised when an evidence file does not exist for a job (404, missing file, timeout)"""
    pass


class SourceMalformed(LocationPipelineError):
    """Raised when an evidence file exists but fails structural validation"""
    pass


class RemoteServiceFailure(LocationPipelineError):
    """Raised when the projection or CRS search service is unreachable or returns unusable data"""
    pass
