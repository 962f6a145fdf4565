"""Built-in passages: one two-sentence description per OSI model layer."""
from typing import Tuple

from osi_cryptogram.models.puzzle import Passage

DEFAULT_PASSAGES: Tuple[Passage, ...] = (
    Passage(
        id=1,
        name="Physical",
        text=(
            "The Physical layer is responsible for transmitting raw bits across a physical "
            "medium such as cables or radio waves. It defines electrical, mechanical, and "
            "signaling standards to ensure reliable communication between devices."
        ),
    ),
    Passage(
        id=2,
        name="Data Link",
        text=(
            "The Data Link layer provides node-to-node communication and handles error "
            "detection, correction, and flow control. It ensures that data frames are "
            "delivered reliably across the physical connection."
        ),
    ),
    Passage(
        id=3,
        name="Network",
        text=(
            "The Network layer determines the best path for data to travel between devices "
            "across multiple networks. It handles logical addressing, routing, and packet "
            "forwarding to enable connectivity on a global scale."
        ),
    ),
    Passage(
        id=4,
        name="Transport",
        text=(
            "The Transport layer ensures complete end-to-end delivery of data between "
            "applications. It provides segmentation, error recovery, and flow control "
            "through protocols such as TCP and UDP."
        ),
    ),
    Passage(
        id=5,
        name="Session",
        text=(
            "The Session layer establishes, manages, and terminates connections between "
            "applications. It coordinates communication, maintains dialogs, and supports "
            "synchronization during data exchange."
        ),
    ),
    Passage(
        id=6,
        name="Presentation",
        text=(
            "The Presentation layer translates data into a format that applications can "
            "interpret and use. It manages encryption, compression, and character encoding "
            "to maintain compatibility between systems."
        ),
    ),
    Passage(
        id=7,
        name="Application",
        text=(
            "The Application layer provides direct interfaces for user interaction with "
            "network services. It supports functions such as email, file transfer, and web "
            "browsing, enabling meaningful communication."
        ),
    ),
)
