"""
catalogsync - diff-and-reconcile engine for commerce-platform projects.

Computes the minimal ordered update actions that turn a target project's
resources into a source project's desired state, and applies them with
bounded concurrency, retry, a reference id-to-key cache and a store for
drafts whose references do not exist yet.
"""

__version__ = "0.1.0"
