"""
Error types for VideoBatch
"""


class VideoBatchError(Exception):
    """Base class for all VideoBatch errors"""


class ConfigurationError(VideoBatchError):
    """Invalid arguments, missing input directory or missing required tool"""


class DiscoveryError(VideoBatchError):
    """Input directory could not be listed"""


class ConversionFailure(VideoBatchError):
    """A single item failed to convert (non-fatal, isolated to that item)"""


class PostProcessingWarning(VideoBatchError):
    """Metadata or timestamp copy failed for a converted item"""
