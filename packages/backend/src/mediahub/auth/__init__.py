"""Authentication: the token authority and the per-request identity.

Learn: Users log in with email (or username) + password and receive a
JWT pair, delivered as HTTP-only cookies (and in the body for non-browser
clients):
1. accessToken  → authorizes ordinary requests (1 hour)
2. refreshToken → mints a new pair, once (15 days, rotated on every use)

Every request that passes authentication gets a RequestContext, which
handlers pass explicitly into the service layer.
"""
