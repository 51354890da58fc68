"""
Core business logic components.

This package contains the postback processing components:
- Input normalization and validation
- Decision table expanding one postback into outbound events
- Click id masking
- Outbound dispatch and reporting
- Audit log sink
- Metrics collection
"""
