"""
zapforge: Startup orchestration for a cluster-library code generator.

Brings up the metadata store, loads schema, domain metadata and templates,
then runs exactly one of the self-check, generate, SDK-generate or server
workflows.
"""

__version__ = "0.3.0"
