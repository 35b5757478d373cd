"""Host and in-container services used by the provisioner."""
