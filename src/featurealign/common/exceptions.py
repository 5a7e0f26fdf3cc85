class FeatureAlignException(Exception):
    """Base exception for feature alignment."""

    pass


class FeatureAlignValidationException(FeatureAlignException):
    """Exception raised when a validation error occurs."""

    pass


class FeatureAlignConfigurationException(FeatureAlignException):
    """Exception raised when configuration parameters are invalid."""

    pass


class FeatureAlignImageProcessingException(FeatureAlignException):
    """Exception raised when image processing operations fail."""

    pass


class FeatureAlignFileException(FeatureAlignException):
    """Exception raised when file operations fail."""

    pass


class FeatureAlignMemoryException(FeatureAlignException):
    """Exception raised when memory or resource limits are exceeded."""

    pass


class FeatureAlignInterruptedException(FeatureAlignException):
    """Exception raised when a parallel batch is cancelled."""

    pass


class FeatureAlignNoninvertibleModelException(FeatureAlignException):
    """Exception raised when a transform cannot be inverted."""

    pass


class FeatureAlignNotEnoughDataPointsException(FeatureAlignException):
    """Exception raised when a model fit gets too few point matches."""

    pass


class FeatureAlignIllDefinedDataPointsException(FeatureAlignException):
    """Exception raised when point matches do not define a unique model."""

    pass
