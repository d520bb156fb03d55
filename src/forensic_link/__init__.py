"""
Forensic Link - case-link graph queries and neighborhood graphs
"""

__version__ = "0.1.0"
