"""Domain Layer: interfaces (ports), value objects and events.

Has no dependencies on the infrastructure layer.
"""
