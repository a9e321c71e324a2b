"""Azure Provisioner - declarative resource group provisioning workflow runner."""

__version__ = "0.1.0"
