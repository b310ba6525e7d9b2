"""
Capability reconciliation and installation engine.
"""
