"""
Bootstrap provisioning for the IoT device manager host.

Settings, the error taxonomy, the interactive CLI helpers and the entry
points (full bootstrap and the init-system supervise verb) live here.
"""
