# Homelab documentation tests (JSON + HTML pages)
# Dependent files: app/routers/homelab.py, app/services/homelab.py, config.content.yaml

from app.services.homelab import (
    default_og_image, get_homelab_hardware,
    get_homelab_technologies, get_homelab_technology_by_slug,
)

CONFIG = {
    "homelab": {
        "hardware": {"cpu": "Test CPU", "memory": "8GB"},
        "technologies": [
            {"slug": "proxmox", "name": "Proxmox VE", "kind": "hypervisor",
             "keyDetails": ["KVM"], "links": [{"label": "Docs", "url": "https://example.com"}]},
            {"slug": "bare", "name": "Bare"},
        ],
    }
}


def test_technologies_are_normalized():
    techs = get_homelab_technologies(CONFIG)
    assert [t["slug"] for t in techs] == ["proxmox", "bare"]
    bare = techs[1]
    assert bare["keyDetails"] == []
    assert bare["links"] == []
    assert bare["whatItIs"] is None


def test_lookup_by_slug():
    assert get_homelab_technology_by_slug("proxmox", CONFIG)["name"] == "Proxmox VE"
    assert get_homelab_technology_by_slug("nope", CONFIG) is None


def test_hardware_has_every_field():
    assert get_homelab_hardware(CONFIG) == {
        "cpu": "Test CPU", "memory": "8GB", "storage": "", "motherboard": "",
    }
    assert get_homelab_hardware({}) == {"cpu": "", "memory": "", "storage": "", "motherboard": ""}


def test_og_image():
    assert default_og_image() == "/api/og?type=homelab"
    assert default_og_image("ryzen 5600g") == "/api/og?type=homelab&slug=ryzen%205600g"


def test_default_content_ships_technologies():
    slugs = {t["slug"] for t in get_homelab_technologies()}
    assert {"proxmox", "casaos", "docker"} <= slugs


# ── Routes ────────────────────────────────────────────────────────────────────

def test_api_overview(client):
    data = client.get("/api/homelab").json()
    assert data["hardware"]["cpu"].startswith("AMD Ryzen 5 5600G")
    assert any(t["slug"] == "proxmox" for t in data["technologies"])


def test_api_technology(client):
    assert client.get("/api/homelab/docker").json()["name"] == "Docker"
    missing = client.get("/api/homelab/nope")
    assert missing.status_code == 404
    assert missing.json() == {"error": "Technology not found"}


def test_overview_page(client):
    resp = client.get("/homelab")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/html")
    assert "Proxmox VE" in resp.text
    assert "/homelab/casaos" in resp.text


def test_technology_page(client):
    resp = client.get("/homelab/proxmox")
    assert resp.status_code == 200
    assert "<h1>Proxmox VE</h1>" in resp.text
    assert "TechArticle" in resp.text
    assert "https://pve.proxmox.com/wiki/Main_Page" in resp.text


def test_technology_page_not_found(client):
    assert client.get("/homelab/nope").status_code == 404
