"""
careslots - appointment slot resolution and join-window gating for a
telehealth booking portal.
"""

__version__ = "0.1.0"
