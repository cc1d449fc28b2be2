"""Runtime plumbing shared by commands: context, logging, subprocess, serialization."""
