"""Key image rendering for the FlexBar LCD keys.

Everything here is synchronous Pillow code. The poll loop downloads album
art beforehand so a render pass never touches the network.
"""
