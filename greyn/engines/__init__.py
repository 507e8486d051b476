"""
Domain engines layered on the kernel: list consoles, security, finance, activities.
"""
