"""
Core primitives: phases, errors, entities, indexing helpers and the phase timer.
"""
