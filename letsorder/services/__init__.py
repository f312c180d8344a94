"""
                        Services Module

Contains all business logic. Restaurant-scoped operations go through
``authorization.authorize``; collaborators with an external backend have
Mock/Real (or memory/redis) implementations behind a cached factory.

Services:
    - authorization: Capability checks against stored grants
    - accounts: Registration and login
    - restaurants: Restaurant lifecycle and manager administration
    - invitations: Manager invite issue and redemption
    - tables / menu: Table codes, QR URLs and menu CRUD
    - orders: Order placement and enriched order views
    - notifications: Invite email delivery (Mock / SendGrid)
    - ratelimit: Sliding-window limiter (memory / Redis)
"""
