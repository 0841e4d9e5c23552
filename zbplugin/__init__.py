"""Chat bot plugin toolkit: reminders, group management, music, memes, lookups and local stores."""

__version__ = "0.1.0"