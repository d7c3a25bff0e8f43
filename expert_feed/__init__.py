"""Expert Feed - live marketplace question feed for knowledge providers"""
