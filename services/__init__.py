"""Services package: sync, uploads, auth, AI and the application controller"""
