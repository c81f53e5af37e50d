# =======================================================================================
# adms_gateway/utils/exceptions.py - Custom Exceptions
# =======================================================================================
class GatewayError(Exception):
    """Base exception for the ADMS gateway."""
    status_code = 500

class ClientInputError(GatewayError):
    """Raised when a required identifier (serial, employee id, device UUID) is missing."""
    status_code = 400

class MalformedRecordError(GatewayError):
    """Raised when a pushed attendance line cannot be parsed."""
    status_code = 400

class ConfigurationError(GatewayError):
    """Raised at startup when the configured store cannot be used."""
    pass
