"""
HTTP layer of the partogram service.
"""
