"""
cspbuilder - Content-Security-Policy header compiler
"""

__version__ = "0.1.0"

from cspbuilder.core.compiler import CSPBuilder
from cspbuilder.models.policy import ConnectionContext, PolicyConfigError

__all__ = ['CSPBuilder', 'ConnectionContext', 'PolicyConfigError']
