"""
Feature modules live under this package.

Data modules (accounts, doctors, appointments) own models + services.
Page modules (client, doctor, admin) own a blueprint each and reuse the
platform primitives (auth, RBAC, audit, DB session).
"""
