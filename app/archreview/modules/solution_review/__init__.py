"""
Solution Review documents.

- Five lifecycle states (DRAFT/SUBMITTED/APPROVED/ACTIVE/OUTDATED) and their operations
- vMAJOR.MINOR.PATCH labels assigned when a document becomes ACTIVE
- At most one DRAFT/SUBMITTED/APPROVED and at most one ACTIVE document per system code
"""
