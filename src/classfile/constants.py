"""Class file format constants (JVMS chapter 4)."""

from __future__ import annotations

MAGIC = 0xCAFEBABE

# Constant pool tags
CONSTANT_UTF8 = 1
CONSTANT_INTEGER = 3
CONSTANT_FLOAT = 4
CONSTANT_LONG = 5
CONSTANT_DOUBLE = 6
CONSTANT_CLASS = 7
CONSTANT_STRING = 8
CONSTANT_FIELDREF = 9
CONSTANT_METHODREF = 10
CONSTANT_INTERFACE_METHODREF = 11
CONSTANT_NAME_AND_TYPE = 12
CONSTANT_METHOD_HANDLE = 15
CONSTANT_METHOD_TYPE = 16
CONSTANT_DYNAMIC = 17
CONSTANT_INVOKE_DYNAMIC = 18
CONSTANT_MODULE = 19
CONSTANT_PACKAGE = 20

MEMBER_REF_TAGS = frozenset(
    {CONSTANT_FIELDREF, CONSTANT_METHODREF, CONSTANT_INTERFACE_METHODREF}
)
WIDE_TAGS = frozenset({CONSTANT_LONG, CONSTANT_DOUBLE})

# Access flags
ACC_PUBLIC = 0x0001
ACC_PRIVATE = 0x0002
ACC_PROTECTED = 0x0004
ACC_STATIC = 0x0008
ACC_FINAL = 0x0010
ACC_SUPER = 0x0020
ACC_SYNCHRONIZED = 0x0020
ACC_VOLATILE = 0x0040
ACC_BRIDGE = 0x0040
ACC_TRANSIENT = 0x0080
ACC_VARARGS = 0x0080
ACC_NATIVE = 0x0100
ACC_INTERFACE = 0x0200
ACC_ABSTRACT = 0x0400
ACC_STRICT = 0x0800
ACC_SYNTHETIC = 0x1000
ACC_ANNOTATION = 0x2000
ACC_ENUM = 0x4000

VISIBILITY_MASK = ACC_PUBLIC | ACC_PRIVATE | ACC_PROTECTED

# Attribute names
ATTR_CODE = "Code"
ATTR_SIGNATURE = "Signature"
ATTR_EXCEPTIONS = "Exceptions"
ATTR_INNER_CLASSES = "InnerClasses"
ATTR_ENCLOSING_METHOD = "EnclosingMethod"
ATTR_SOURCE_FILE = "SourceFile"
ATTR_LINE_NUMBER_TABLE = "LineNumberTable"
ATTR_LOCAL_VARIABLE_TABLE = "LocalVariableTable"
ATTR_LOCAL_VARIABLE_TYPE_TABLE = "LocalVariableTypeTable"
ATTR_METHOD_PARAMETERS = "MethodParameters"
ATTR_ANNOTATION_DEFAULT = "AnnotationDefault"
ATTR_BOOTSTRAP_METHODS = "BootstrapMethods"

ANNOTATION_ATTRIBUTES = frozenset(
    {"RuntimeVisibleAnnotations", "RuntimeInvisibleAnnotations"}
)
PARAMETER_ANNOTATION_ATTRIBUTES = frozenset(
    {"RuntimeVisibleParameterAnnotations", "RuntimeInvisibleParameterAnnotations"}
)

CONSTRUCTOR_NAME = "<init>"
STATIC_INITIALIZER_NAME = "<clinit>"
