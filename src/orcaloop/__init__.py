"""orcaloop: workflow step trees and condition evaluation."""

__version__ = "0.1.0"
