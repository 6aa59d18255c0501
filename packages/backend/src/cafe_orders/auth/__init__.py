"""Staff authentication.

Staff routes accept a Bearer JWT carrying the staff member's id in "sub"
and a role of "staff" or "admin". Issuing tokens for real staff accounts
happens outside this service; `cafe issue-token` mints one for local use.
"""
