"""Inspector-driven audit runner over the Chrome DevTools Protocol.

This package provides:
- CDPConnection / RemoteRuntime: command channel to a remote execution context
- trigger: retrying start action for the inspector panel
- sniffer: one-shot remote method interception that captures the report
- AuditRunner: browser lifecycle, triggering, capture and JSON output
- CLI: `devtools-sniffer run <url>`
"""

__version__ = "0.1.0"
