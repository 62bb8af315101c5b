"""
Orchestrator - contract deployment tracking, gas profiling and the
blocking / async orchestrator facades.
"""
