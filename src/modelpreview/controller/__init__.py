"""
The CONTROLLER layer decodes assets in background threads and feeds the
normalization pipeline. It is the only layer that combines Qt and the model.
"""
