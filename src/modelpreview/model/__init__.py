"""
The MODEL layer contains pure data structures and geometry logic.
It has NO knowledge of the GUI (Qt) or the Visualization (PyVista).
It deals with vertex data, normalization and the load state machine.
"""
