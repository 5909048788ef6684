"""Default federation used when a config file lists no coordinators."""

from peerclient.config.schema import ContactConfig, CoordinatorConfig

DEFAULT_FEDERATION: list[CoordinatorConfig] = [
    CoordinatorConfig(
        alias="Inception",
        description="Original and experimental coordinator",
        cover_letter="N/A",
        logo="inception.png",
        color="#9C27B0",
        contact=ContactConfig(
            email="robosats@protonmail.com",
            telegram="@robosats",
            matrix="#robosats:matrix.org",
            twitter="@robosats",
            website="learn.robosats.com",
        ),
        mainnet_onion="robosats6tkf3eva7x2voqso3a5wcorsnw34jveyxfqi2fu7oyheasid.onion",
        mainnet_clearnet="unsafe.robosats.com",
        testnet_onion="robotestagw3dcxmd66r4rgksb4nmmr43fh77bzn2ia2eucduyeafnyd.onion",
        testnet_clearnet="unsafe.testnet.robosats.com",
    ),
]
