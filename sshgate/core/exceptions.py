"""
Unified exception definitions
"""
from typing import Optional


class SSHGateError(Exception):
    """Base exception class"""
    pass


class ConfigError(SSHGateError):
    """Configuration error (missing binary, malformed arguments, bad settings)"""
    pass


class CredentialError(SSHGateError):
    """Credential materialization error"""
    pass


class SSHExecError(SSHGateError):
    """
    Forked SSH invocation failed.
    
    Raised on non-zero exit status or when the watchdog killed the process.
    
    Attributes:
        output: Combined stdout/stderr captured from the process
        cause: Underlying process fault
    """
    
    def __init__(self, output: str, cause: Optional[BaseException] = None):
        super().__init__(output)
        self.output = output
        self.cause = cause


class TunnelError(SSHGateError):
    """Tunnel error"""
    pass


class SessionError(SSHGateError):
    """Session error"""
    pass


class NoSuchSessionError(SessionError):
    """No session is registered under the given identifier"""
    pass


class SessionInvalidatedError(SessionError):
    """Session is registered but has already been invalidated"""
    pass
