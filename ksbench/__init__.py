"""ksbench: Kubernetes node security benchmark auditor."""

__version__ = "0.1.0"
