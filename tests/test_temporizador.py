from farmacia.domain.erros import ErroServico
from farmacia.infra.temporizador import Debouncer, Throttle
from farmacia.usecases.buscar_produto import BuscaIncremental


class Relogio:
    def __init__(self):
        self.t = 0.0

    def __call__(self):
        return self.t


def test_debouncer_dispara_so_a_ultima_chamada():
    relogio, chamadas = Relogio(), []
    deb = Debouncer(chamadas.append, 0.3, relogio)
    deb.chamar("a")
    relogio.t = 0.2
    assert deb.processar() is False
    deb.chamar("ab")
    relogio.t = 0.4
    assert deb.processar() is False
    relogio.t = 0.5
    assert deb.processar() is True
    assert chamadas == ["ab"]
    assert not deb.pendente
    assert deb.processar() is False


def test_debouncer_cancelar():
    relogio, chamadas = Relogio(), []
    deb = Debouncer(chamadas.append, 0.3, relogio)
    deb.chamar("x")
    deb.cancelar()
    relogio.t = 1.0
    assert deb.processar() is False
    assert chamadas == []


def test_throttle():
    relogio, chamadas = Relogio(), []
    thr = Throttle(chamadas.append, 1.0, relogio)
    assert thr.chamar(1) is True
    relogio.t = 0.5
    assert thr.chamar(2) is False
    relogio.t = 1.0
    assert thr.chamar(3) is True
    assert chamadas == [1, 3]


def test_busca_incremental(fakes, produto):
    relogio = Relogio()
    servico = fakes.Produtos([produto(), produto(id="P2", nome="Dipirona gotas"), produto(id="P3", nome="Paracetamol")])
    busca = BuscaIncremental(servico, atraso=0.3, relogio=relogio)

    busca.digitar("d")
    assert not busca.pendente
    busca.digitar("dip")
    busca.digitar("dipi")
    assert busca.processar() is False
    relogio.t = 0.3
    assert busca.processar() is True
    assert servico.termos == ["dipi"]
    assert [p.id for p in busca.resultados] == ["P1", "P2"]

    busca.digitar("")
    assert busca.resultados == []


def test_busca_incremental_erro_do_servico(fakes):
    servico = fakes.Produtos(erro=ErroServico("fora do ar", status=503))
    busca = BuscaIncremental(servico)
    assert busca.buscar_agora("dipirona") == []
    assert busca.erro == "fora do ar"
