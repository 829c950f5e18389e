"""
Project constants definitions
"""

# ============================================================
# SSH Invocation
# ============================================================

DEFAULT_SSH_BINARY = "ssh"
REMOTE_SHELL_ARGS = ("bash", "-s", "--")
HOST_KEY_POLICIES = ("yes", "accept-new", "no")
DEFAULT_HOST_KEY_POLICY = "accept-new"

# ============================================================
# Credential Materialization
# ============================================================

CREDENTIAL_DIR_PREFIX = "ssh-authz-"
PRIVATE_KEY_FILENAME = "id_rsa"
CERTIFICATE_FILENAME = "id_rsa-cert.pub"
PRIVATE_KEY_MODE = 0o400
CERTIFICATE_MODE = 0o600

# ============================================================
# Tunnels
# ============================================================

TUNNEL_HOLD_COMMAND = "sleep infinity"
DEFAULT_TUNNEL_BIND_HOST = "127.0.0.1"
DEFAULT_MAX_TUNNELS = 64
UNCAPPED_TUNNEL_WORKERS = 1024
PORT_ALLOCATION_ATTEMPTS = 16

# ============================================================
# Logging
# ============================================================

ACCESS_LOGGER_NAME = "sshgate.access"
ENV_PREFIX = "SSHGATE_"
