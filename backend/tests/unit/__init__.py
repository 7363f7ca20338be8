"""Engine unit tests"""
