"""
Authorization Model Engine.

Provisions and reconciles SAS Viya access-control state (custom group
structures, folder and capability authorization rules, CAS library access
controls) from declarative CSV descriptions of the desired state.
"""

__version__ = "1.0.0"

from .config import Settings, load_settings
from .errors import AuthzEngineError

__all__ = ["__version__", "Settings", "load_settings", "AuthzEngineError"]
