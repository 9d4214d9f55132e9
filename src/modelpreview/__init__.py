"""
ModelPreview: interactive viewer for point clouds, meshes and packaged 3D scenes.

Decoded vertex data is normalized (centered, auto-scaled, classified and
shaded) by modelpreview.model before the Qt/PyVista view draws it.
"""
