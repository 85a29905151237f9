"""
antipaste -- encrypted pastes on public paste sites.

Content is encrypted to the recipients' OpenPGP keys before it ever
leaves the machine, and decrypted locally after it comes back.
The paste site only ever sees armored ciphertext.
"""

import os

__version__ = "0.1.0"
__author__ = "antipaste"

ANTIPASTE_HOME = os.environ.get("ANTIPASTE_HOME", "~/.antipaste")
