"""Single-consumer background task queue"""
