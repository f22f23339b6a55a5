"""
Pole Localization Core Package.

2D pose estimation of a mobile platform from range-bearing observations of
fixed reflective poles seen by a rotating range scanner.

Package structure:
- io: Latest-frame slot shared between transport thread and control loop
- proto: Message schemas (scan frames, poses, landmark positions)
- localization: Clustering, map building, tracking, triangulation
- domain: Phase state machine
- metrics: Diagnostics, counters, histograms
"""

__version__ = "0.1.0"
__author__ = "Pole Localization Team"
