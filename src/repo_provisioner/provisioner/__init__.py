"""Repository provisioning components.

- Settings loaded from environment / .env
- Structured logging
- GitHub REST client and local git operator
- The provisioning pipeline and its CLI surface
"""
