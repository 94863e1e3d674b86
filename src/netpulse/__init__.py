"""
NetPulse - Network Path and Link Diagnostics

Streams hop-by-hop traceroute results as they are discovered and
reports the active network's DNS resolvers and Wi-Fi signal level.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

__version__ = "0.1.0"
__author__ = "DNS Science.io"
__copyright__ = "Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company"
