"""
Repository and gateway implementations.

- ``memory`` and ``minio`` persist WorkflowRun records for the local engine
- ``temporal`` registers activities with Temporal workers and exposes the
  Temporal client as a WorkflowGateway
"""
