"""
Game modules for Ultimate Manager.

Each subpackage holds one service (plus pure `*_logic.py` helpers where
the rules are worth testing without a store):

- ledger: currency adjustments and the daily login bonus
- profile: user records, roles and entity links
- catalog: catalog entries (admin CRUD, subscriptions)
- inventory: per-user owned instances
- scouting: community stat votes
- packs: pack opening and quick sell
- potm: Player-of-the-Match elections
- match: match result recording
"""
