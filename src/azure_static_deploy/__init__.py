"""Deploy a built static website to Azure blob storage with azcopy."""

__version__ = "0.1.0"
