"""
contracts — contract sources and the helper library they share.

- contracts.stdlib    : access-control helpers imported by contract code
- contracts.examples  : deployable contract packages (contract.py + manifest.json)
"""
