"""
Application lifecycle.

An application is one team's bid for one opportunity. It moves
submitted -> reviewing -> interviewing -> accepted, and may be rejected from
any non-terminal state. Team leads/admins own the content and may withdraw
early; company users drive review, interviews and offers.
"""
