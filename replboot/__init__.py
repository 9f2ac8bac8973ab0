"""
replboot: replica set bootstrap for Consul-discovered MongoDB nodes

Decides at boot whether this node founds a new replica set or joins an
existing one, drives mongod through rs.initiate / rs.add, and waits until the
member replicates and is visible in the registry.
- address_resolver: local bind address from mongod.conf or interfaces
- discovery_client: Consul health API client
- db_admin / shell_output: mongo shell commands and output parsing
- readiness: bounded polling
- orchestrator: the bootstrap state machine
"""
