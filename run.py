"""
Development Launcher
====================
Starts ModelPreview straight from a source checkout, without installing it.

The package lives under 'src/', which is not importable from the repository
root, so that directory is prepended to sys.path before importing main().
Installed copies use the 'modelpreview' console script instead.

Usage:
    $ python run.py assets/sample_point_cloud.ply --rotation-speed 0.5
    $ python run.py --demo --distort 0.4
"""
import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(os.path.abspath(__file__)), 'src'))

from modelpreview.main import main

if __name__ == "__main__":
    main()
