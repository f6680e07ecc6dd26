"""
GyroLock - Gesture unlocking from a 3-axis rate gyroscope

A user enrolls a "password" motion once, then repeats it to unlock.
Each recording is squashed through a sigmoid, trimmed to the movement
window and compared against the enrolled template with Dynamic Time
Warping, one axis at a time.
"""

__version__ = "0.1.0"
__author__ = "GyroLock Project"

from .config import Config
