"""
Pipeline definitions.

A pipeline is a named category of submissions (e.g. MAGE-TAB) with its own
checker daemon type, desired number of daemon instances and the settings
passed through to each daemon. The daemon orchestrator only ever reads these.
"""
