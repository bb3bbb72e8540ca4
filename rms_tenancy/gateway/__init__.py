"""
API gateway: service health table, checks and tenant-aware dispatch
"""
