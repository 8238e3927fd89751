VERSION = "0.3.0"
CARTSCOPE = "cartscope " + VERSION
