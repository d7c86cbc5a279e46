"""Single-frame fiducial marker detection and pose strategies."""
