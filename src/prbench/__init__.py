"""prbench: benchmark a package against a reference branch and publish the results."""

__version__ = "0.1.0"
