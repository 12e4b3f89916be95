"""HTTP boundary for the SSI exchange"""
