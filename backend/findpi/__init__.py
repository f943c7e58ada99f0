"""findpi: local network device discovery with vendor identification.

Sweeps a local /24 with ICMP echo, matches responsive hosts against the
OS neighbor cache to recover MAC addresses, and classifies each device
by its OUI, flagging Raspberry Pis.
"""

__version__ = "1.0.0"
