"""Digital business card builder: sign up, edit your card, publish it at /businesscard/<username>."""

__version__ = "0.1.0"
