"""
The VIEW layer: Qt main window, control panel and the PyVista 3D widget.
It only reads NormalizationResults; it never changes the normalized geometry.
"""
