"""sitegen-bridge: relay editor prompts to a generative model and write the web app it returns.

The server side (:mod:`sitegen_bridge.server`) turns a prompt into a file set;
the client side (:mod:`sitegen_bridge.client`) writes that file set into a
workspace.
"""

__version__ = "0.1.0"
