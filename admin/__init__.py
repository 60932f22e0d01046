"""Admin back office package"""
