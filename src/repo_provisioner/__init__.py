"""GitHub repository provisioner.

Turns a freshly generated project directory into a pushed GitHub repository:
- repository creation under an organization
- initial commit pushed to `main`
- optional `develop` branch
- optional dev/prod deployment workflow dispatch
"""

__version__ = "0.1.0"

from repo_provisioner.provisioner.config import ProvisionerSettings

__all__ = ["__version__", "ProvisionerSettings"]
