# =======================================================================================
# adms_gateway/__init__.py - Package Initialization
# =======================================================================================
"""
ADMS Device Gateway

Receives pushes and polls from ZKTeco-class biometric terminals, keeps device
liveness, merges device-reported users and fingerprints, and queues
provisioning commands back to the terminals.
"""

__version__ = "1.0.0"
