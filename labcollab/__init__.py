"""Sample collaboration and audit core for laboratory information systems.

Modules:
    - samples: label inheritance, assignees, sample state machine and the
      activity timeline, plus the laboratory API client they share
    - shared: logging and datetime utilities
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
