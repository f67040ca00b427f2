"""smtctl - detect cross-thread CPU vulnerabilities and toggle SMT."""

__version__ = "0.1.0"
