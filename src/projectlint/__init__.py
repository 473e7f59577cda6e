"""project-lint: profile-aware source-tree lint and IDE/agent hook decisions."""

__version__ = "0.4.0"
