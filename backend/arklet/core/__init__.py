"""
Core framework modules.
Contains the lifecycle infrastructure:
- arklet: the Arklet instance (options, hooks, storage, updates)
- bootstrap: one-time application initialization and update runs
- db: Tortoise ORM connection management
- errors: framework error types
- hooks: allow-listed hook registry with sequential handler chains
- options: normalised key/value option store
- session: session subsystem initialization
- updates: registered one-off application updates
"""
