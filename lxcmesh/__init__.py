"""lxcmesh - provision an Arch Linux LXC container with a Netbird mesh client."""

__version__ = "0.1.0"
