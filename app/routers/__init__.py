"""
HTTP routers, one per API area. Mounted by app.main.
"""
