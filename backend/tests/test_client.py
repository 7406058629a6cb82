import pytest
from elastic_transport import ApiResponseMeta, ConnectionTimeout, HttpHeaders, NodeConfig
from elastic_transport import ConnectionError as ESConnectionError
from elasticsearch import ApiError

from geodistance.errors import QueryExecutionError
from geodistance.schemas import LookupRequest
from geodistance.search import client as client_mod
from geodistance.search.client import SearchClient

from conftest import hit


def _response(hits=None, failures=None):
    shards = {"total": 1, "successful": 1, "failed": 0}
    if failures is not None:
        shards["failures"] = failures
    return {"took": 1, "_shards": shards, "hits": {"total": {"value": len(hits or [])}, "hits": hits or []}}


def _api_error(status):
    meta = ApiResponseMeta(
        status=status, http_version="1.1", headers=HttpHeaders(), duration=0.0,
        node=NodeConfig("http", "es1", 9200),
    )
    return ApiError("search_phase_execution_exception", meta=meta, body={})


class _Response:
    def __init__(self, body):
        self.body = body


class _StubElasticsearch:
    """Stands in for elasticsearch.Elasticsearch; records how it was built and called."""

    instances = []

    def __init__(self, **kwargs):
        self.init_kwargs = kwargs
        self.calls = []
        self.answer = _response()
        self.closed = False
        _StubElasticsearch.instances.append(self)

    def search(self, **kwargs):
        self.calls.append(kwargs)
        if isinstance(self.answer, Exception):
            raise self.answer
        return _Response(self.answer)

    def close(self):
        self.closed = True


@pytest.fixture
def stub_es(monkeypatch):
    _StubElasticsearch.instances = []
    monkeypatch.setattr(client_mod, "Elasticsearch", _StubElasticsearch)
    return _StubElasticsearch


def test_free_text_search_sends_query_params(stub_es):
    client = SearchClient(["es1:9200"], user="elastic", password="changeme")
    es = stub_es.instances[0]
    es.answer = _response([hit("1,1")])

    res = client.search(LookupRequest(index="logins", q="user:a", size=1, sort="@timestamp:desc"))

    assert len(res.hits) == 1
    assert res.shard_failures is None
    assert es.calls == [{"index": "logins", "q": "user:a", "size": 1, "sort": "@timestamp:desc"}]
    assert es.init_kwargs["hosts"] == ["http://es1:9200"]
    assert es.init_kwargs["basic_auth"] == ("elastic", "changeme")
    assert "ca_certs" not in es.init_kwargs


def test_template_search_sends_body_and_empty_index_means_all(stub_es):
    client = SearchClient(["es1:9200"])
    client.search(LookupRequest(index="  ", body={"query": {"match_all": {}}}))
    es = stub_es.instances[0]
    assert es.calls == [{"index": None, "body": {"query": {"match_all": {}}}}]
    assert "basic_auth" not in es.init_kwargs


def test_ssl_and_ca_file(stub_es):
    SearchClient(["es1:9200", "https://es2:9243/"], ssl=True, ca_file="/etc/ca.pem", timeout=5.0)
    kw = stub_es.instances[0].init_kwargs
    assert kw["hosts"] == ["https://es1:9200", "https://es2:9243"]
    assert kw["ca_certs"] == "/etc/ca.pem"
    assert kw["request_timeout"] == 5.0
    # one retry per extra node
    assert kw["max_retries"] == 1


def test_shard_failures_are_reported(stub_es):
    client = SearchClient(["es1:9200"])
    stub_es.instances[0].answer = _response(failures=[{"reason": "boom"}])
    assert client.search(LookupRequest(index="x")).shard_failures == [{"reason": "boom"}]


@pytest.mark.parametrize("error", [
    _api_error(500),
    _api_error(401),
    ESConnectionError("refused"),
    ConnectionTimeout("slow"),
])
def test_backend_errors_become_query_errors(stub_es, error):
    client = SearchClient(["es1:9200"])
    stub_es.instances[0].answer = error
    with pytest.raises(QueryExecutionError):
        client.search(LookupRequest(index="x"))


@pytest.mark.parametrize("payload", [[1, 2], {"hits": {"hits": [1, 2]}}, {"hits": "x"}])
def test_malformed_response_raises(stub_es, payload):
    client = SearchClient(["es1:9200"])
    stub_es.instances[0].answer = payload
    with pytest.raises(QueryExecutionError):
        client.search(LookupRequest(index="x"))


def test_from_settings_and_close(stub_es, settings_factory):
    s = settings_factory(ES_HOSTS=["https://es.example:9243/"], ES_USER="u", ES_PASSWORD="p")
    client = SearchClient.from_settings(s)
    kw = stub_es.instances[0].init_kwargs
    assert kw["hosts"] == ["https://es.example:9243"]
    assert kw["basic_auth"] == ("u", "p")
    assert kw["request_timeout"] == s.ES_REQUEST_TIMEOUT
    client.close()
    assert stub_es.instances[0].closed
