"""cluster-reflector: Kubernetes node inventory and application version reflector."""

__version__ = "0.1.0"

# Overridden at image build time.
GIT_COMMIT = "unknown"
BUILD_DATE = "unknown"
